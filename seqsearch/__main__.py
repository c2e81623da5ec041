"""Module entrypoint for ``python -m seqsearch``."""

from .cli import main


if __name__ == "__main__":
    main()

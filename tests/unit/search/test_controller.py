"""Tests for candidate resolution, chunking, streaming, and cancellation."""

from __future__ import annotations

import unittest
from pathlib import Path
from unittest import mock

from seqsearch.cache import ContentCache
from seqsearch.chunks import ChunkProcessor
from seqsearch.classify import FileClassifier
from seqsearch.controller import CancellationToken, SearchController, SearchPhase, iter_chunks
from seqsearch.errors import QueryCompileError, SearchCancelledError
from seqsearch.models import SearchBuffer, SearchQuery
from seqsearch.state import SearchState

ROOT = Path("/workspace")


class _DictReader:
    def __init__(self, files: dict[Path, str]) -> None:
        self.files = files
        self.read_count = 0

    def read(self, path: Path) -> str:
        self.read_count += 1
        return self.files[path]


def _controller(reader: _DictReader, chunk_size: int = 100, batch_size: int = 20) -> SearchController:
    processor = ChunkProcessor(ContentCache(reader), FileClassifier(), lambda path: path.name)
    return SearchController(processor, chunk_size=chunk_size, batch_size=batch_size)


def _workspace(count: int, every: int = 2) -> dict[Path, str]:
    return {
        ROOT / f"f{idx:02d}.txt": ("a hit here" if idx % every == 0 else "nothing")
        for idx in range(count)
    }


class CandidateResolutionTests(unittest.TestCase):
    def test_active_buffer_files_are_the_candidates(self) -> None:
        state = SearchState(
            buffers=[SearchBuffer(0, (ROOT / "b.txt", ROOT / "a.txt"), "foo (in contents)")],
            active_buffer_id=0,
        )
        lister = mock.Mock()

        candidates = _controller(_DictReader({})).resolve_candidates(state, lister, ["**/node_modules/**"])

        self.assertEqual(candidates, [ROOT / "a.txt", ROOT / "b.txt"])
        lister.list_files.assert_not_called()

    def test_lister_output_is_deduplicated_and_sorted(self) -> None:
        lister = mock.Mock()
        lister.list_files.return_value = [ROOT / "z.txt", ROOT / "a-b.txt", ROOT / "a" / "b.txt", ROOT / "z.txt"]

        candidates = _controller(_DictReader({})).resolve_candidates(SearchState(), lister, ["**/node_modules/**"])

        lister.list_files.assert_called_once_with(("**/node_modules/**",))
        self.assertEqual(candidates, [ROOT / "a-b.txt", ROOT / "a" / "b.txt", ROOT / "z.txt"])

    def test_iter_chunks_produces_contiguous_slices(self) -> None:
        items = [ROOT / str(idx) for idx in range(5)]

        self.assertEqual([len(chunk) for chunk in iter_chunks(items, 2)], [2, 2, 1])
        self.assertEqual([p for chunk in iter_chunks(items, 2) for p in chunk], items)


class SearchRunTests(unittest.TestCase):
    def test_results_are_sorted_and_independent_of_chunk_size(self) -> None:
        files = _workspace(25)
        candidates = sorted(files, key=lambda p: p.as_posix(), reverse=True)
        outputs = []
        for chunk_size in (1, 7, 100):
            controller = _controller(_DictReader(files), chunk_size=chunk_size)
            outputs.append(controller.run(SearchQuery("hit"), candidates, CancellationToken()))

        self.assertEqual(outputs[0], outputs[1])
        self.assertEqual(outputs[1], outputs[2])
        paths = [result.file_path for result in outputs[0]]
        self.assertEqual(paths, sorted(paths, key=lambda p: p.as_posix()))
        self.assertEqual(len(paths), 13)

    def test_exclude_results_are_the_complement_of_include_results(self) -> None:
        files = _workspace(12, every=3)
        candidates = sorted(files)
        controller = _controller(_DictReader(files), chunk_size=4)

        included = {r.file_path for r in controller.run(SearchQuery("hit"), candidates, CancellationToken())}
        excluded = {
            r.file_path for r in controller.run(SearchQuery("hit", is_exclude=True), candidates, CancellationToken())
        }

        self.assertEqual(included & excluded, set())
        self.assertEqual(included | excluded, set(candidates))

    def test_partial_results_are_emitted_per_batch(self) -> None:
        files = _workspace(30, every=1)
        controller = _controller(_DictReader(files), chunk_size=5, batch_size=10)
        emitted: list[int] = []

        token = CancellationToken()

        final = controller.run(SearchQuery("hit"), sorted(files), token, on_partial=lambda r: emitted.append(len(r)))

        self.assertEqual(emitted, [10, 20, 30])
        self.assertEqual(len(final), 30)
        self.assertEqual(token.phase, SearchPhase.COMPLETED)

    def test_cancellation_stops_at_next_chunk_boundary(self) -> None:
        files = _workspace(20, every=1)
        reader = _DictReader(files)
        controller = _controller(reader, chunk_size=5, batch_size=5)
        token = CancellationToken()
        emitted: list[int] = []

        def on_partial(results) -> None:
            emitted.append(len(results))
            token.cancel()

        with self.assertRaises(SearchCancelledError):
            controller.run(SearchQuery("hit"), sorted(files), token, on_partial=on_partial)

        self.assertEqual(emitted, [5])
        self.assertEqual(reader.read_count, 5)
        self.assertEqual(token.phase, SearchPhase.CANCELLED)

    def test_superseded_run_only_updates_its_own_token(self) -> None:
        files = _workspace(10, every=1)
        controller = _controller(_DictReader(files), chunk_size=5, batch_size=5)
        stale = CancellationToken()
        current = CancellationToken()
        current.phase = SearchPhase.CHUNKING

        def on_partial(results) -> None:
            stale.cancel()

        with self.assertRaises(SearchCancelledError):
            controller.run(SearchQuery("hit"), sorted(files), stale, on_partial=on_partial)

        self.assertEqual(stale.phase, SearchPhase.CANCELLED)
        self.assertEqual(current.phase, SearchPhase.CHUNKING)

    def test_already_cancelled_token_reads_nothing(self) -> None:
        files = _workspace(3)
        reader = _DictReader(files)
        token = CancellationToken()
        token.cancel()

        with self.assertRaises(SearchCancelledError):
            _controller(reader).run(SearchQuery("hit"), sorted(files), token)

        self.assertEqual(reader.read_count, 0)

    def test_invalid_regex_fails_before_any_read(self) -> None:
        files = _workspace(3)
        reader = _DictReader(files)

        with self.assertRaises(QueryCompileError):
            _controller(reader).run(SearchQuery("(", use_regex=True), sorted(files), CancellationToken())

        self.assertEqual(reader.read_count, 0)


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from pretackler.domain.errors import StagingError
from pretackler.infrastructure.runtime import StreamingTransaction, parse_frame


def data_line(content: str) -> bytes:
    payload = {"id": "chunk", "choices": [{"index": 0, "delta": {"content": content}}]}
    return f"data: {json.dumps(payload)}\n\n".encode()


def sse_body(*deltas: str) -> bytes:
    return b"".join(data_line(delta) for delta in deltas) + b"data: [DONE]\n\n"


def test_parse_frame_extracts_delta_content() -> None:
    frame = parse_frame(data_line("Hello"))

    assert frame is not None
    assert frame.deltas == ("Hello",)
    assert frame.done is False


def test_parse_frame_recognizes_done_sentinel() -> None:
    frame = parse_frame(b"data: [DONE]\r\n")

    assert frame is not None
    assert frame.done is True


@pytest.mark.parametrize(
    "line",
    [
        b"\n",
        b": keep-alive\n",
        b"event: message\n",
        b"data: {not json\n",
        b'data: {"choices": "oops"}\n',
    ],
)
def test_parse_frame_ignores_non_content_lines(line: bytes) -> None:
    assert parse_frame(line) is None


def test_parse_frame_without_content_yields_no_deltas() -> None:
    frame = parse_frame(b'data: {"choices": [{"delta": {"role": "assistant"}}]}\n')

    assert frame is not None
    assert frame.deltas == ()


def test_transaction_commits_exact_concatenation(tmp_path: Path) -> None:
    destination = tmp_path / "out" / "main.py.summary.v1.md"
    body = sse_body("# Summary", "\n", "Ünïcode ", "tail")

    async def scenario() -> int:
        async with StreamingTransaction.open(destination) as transaction:
            # Feed in awkward slices so frames straddle chunk boundaries.
            finished = False
            for start in range(0, len(body), 7):
                finished = await transaction.append(body[start : start + 7])
            assert finished is True
            assert not destination.exists()
            transaction.commit()
            return transaction.bytes_written

    written = asyncio.run(scenario())

    expected = "# Summary\nÜnïcode tail"
    assert destination.read_text(encoding="utf-8") == expected
    assert written == len(expected.encode("utf-8"))
    assert list(tmp_path.rglob("*.partial")) == []


def test_transaction_skips_malformed_frames(tmp_path: Path) -> None:
    destination = tmp_path / "doc.md"
    body = data_line("a") + b"data: {broken\n\n" + data_line("b") + b"data: [DONE]\n\n"

    async def scenario() -> None:
        async with StreamingTransaction.open(destination) as transaction:
            await transaction.append(body)
            transaction.commit()

    asyncio.run(scenario())

    assert destination.read_text(encoding="utf-8") == "ab"


def test_transaction_ignores_bytes_after_done(tmp_path: Path) -> None:
    destination = tmp_path / "doc.md"

    async def scenario() -> None:
        async with StreamingTransaction.open(destination) as transaction:
            assert await transaction.append(sse_body("x")) is True
            assert await transaction.append(data_line("late")) is True
            transaction.commit()

    asyncio.run(scenario())

    assert destination.read_text(encoding="utf-8") == "x"


def test_transaction_commit_before_finish_raises(tmp_path: Path) -> None:
    destination = tmp_path / "doc.md"

    async def scenario() -> None:
        async with StreamingTransaction.open(destination) as transaction:
            await transaction.append(data_line("partial"))
            with pytest.raises(StagingError, match="has not finished"):
                transaction.commit()

    asyncio.run(scenario())

    assert not destination.exists()
    assert list(tmp_path.iterdir()) == []


def test_transaction_discards_staging_on_error(tmp_path: Path) -> None:
    destination = tmp_path / "doc.md"
    staging_paths: list[Path] = []

    async def scenario() -> None:
        async with StreamingTransaction.open(destination) as transaction:
            staging_paths.append(transaction.staging_path)
            await transaction.append(data_line("half"))
            assert transaction.staging_path.exists()
            raise RuntimeError("connection dropped")

    with pytest.raises(RuntimeError):
        asyncio.run(scenario())

    assert not staging_paths[0].exists()
    assert not destination.exists()


def test_transaction_handles_unterminated_trailing_frame(tmp_path: Path) -> None:
    destination = tmp_path / "doc.md"

    async def scenario() -> None:
        async with StreamingTransaction.open(destination) as transaction:
            await transaction.append(data_line("a") + data_line("b").rstrip(b"\n"))
            assert await transaction.finish_input() is False
            transaction.commit()

    asyncio.run(scenario())

    assert destination.read_text(encoding="utf-8") == "ab"


def test_transaction_reports_delta_sizes(tmp_path: Path) -> None:
    destination = tmp_path / "doc.md"
    sizes: list[int] = []

    async def on_delta(size: int) -> None:
        sizes.append(size)

    async def scenario() -> None:
        async with StreamingTransaction.open(destination, on_delta=on_delta) as transaction:
            await transaction.append(sse_body("ab", "é"))
            transaction.commit()

    asyncio.run(scenario())

    assert sizes == [2, 2]


def test_commit_replaces_existing_destination(tmp_path: Path) -> None:
    destination = tmp_path / "doc.md"
    destination.write_text("stale", encoding="utf-8")

    async def scenario() -> None:
        async with StreamingTransaction.open(destination) as transaction:
            assert destination.read_text(encoding="utf-8") == "stale"
            await transaction.append(sse_body("fresh"))
            transaction.commit()

    asyncio.run(scenario())

    assert destination.read_text(encoding="utf-8") == "fresh"

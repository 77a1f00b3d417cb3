import asyncio
from typing import List
from unittest.mock import AsyncMock, MagicMock


def create_mock_stream_writer() -> MagicMock:
    mock_writer = MagicMock(spec=asyncio.StreamWriter)
    mock_writer.write = MagicMock()
    mock_writer.drain = AsyncMock()
    mock_writer.close = MagicMock()
    mock_writer.wait_closed = AsyncMock()
    mock_writer.is_closing = MagicMock(return_value=False)
    return mock_writer


def written_lines(mock_writer: MagicMock) -> List[str]:
    """Decode everything written to a mock writer, one entry per log line."""
    return [
        call.args[0].decode().rstrip("\n")
        for call in mock_writer.write.call_args_list
    ]

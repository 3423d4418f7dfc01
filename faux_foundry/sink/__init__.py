from faux_foundry.sink.base import StreamSink
from faux_foundry.sink.jsonl import DEFAULT_BUFFER_SIZE, JsonlSink, open_sink

__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "JsonlSink",
    "StreamSink",
    "open_sink",
]

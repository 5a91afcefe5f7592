"""Internal components for the agentwire subprocess architecture."""

from .transport import Transport
from .transport.in_memory import InMemoryTransport
from .transport.process import ProcessSupervisor
from .transport.stdio_cli import SubprocessCLITransport
from .framing import FrameDecoder
from .message_parser import parse_message

__all__ = [
    "Transport",
    "InMemoryTransport",
    "ProcessSupervisor",
    "SubprocessCLITransport",
    "FrameDecoder",
    "parse_message",
]

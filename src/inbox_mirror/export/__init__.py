"""Export of inbox messages to files."""

from .formatters import FORMATS, export_filename, export_messages, format_sender

__all__ = ["FORMATS", "export_filename", "export_messages", "format_sender"]

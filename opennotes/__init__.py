"""OpenNotes - record a call, transcribe it and summarize it."""

__version__ = "0.1.0"

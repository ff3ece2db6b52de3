"""codesight - synthesize fine-tuning examples from recorded shopping sessions."""

__version__ = "0.1.0"

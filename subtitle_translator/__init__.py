"""Video subtitle extraction, transcription and translation pipeline."""

from .environment import load_environment

# Load .env-style files on import so the CLI and embedding services see the
# same configuration.
load_environment()

__all__ = ["load_environment"]

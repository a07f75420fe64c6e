"""WorldForge - phased LLM world generation for tabletop campaigns."""

__version__ = "0.1.0"

"""diff-insight: structural change extraction for code, stylesheet and markup diffs."""

__version__ = "0.3.0"

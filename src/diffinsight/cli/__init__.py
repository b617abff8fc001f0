"""diff-insight command line interface."""

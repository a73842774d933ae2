"""Command-line interface for helios-oncall."""

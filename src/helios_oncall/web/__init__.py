"""HTTP surface for helios-oncall."""

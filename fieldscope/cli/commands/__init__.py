"""Click commands registered on the fieldscope CLI group."""

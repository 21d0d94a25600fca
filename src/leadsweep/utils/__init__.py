"""Pure helper utilities for qualification, scoring and message rendering."""

"""Terminal UI: theme, menu and report rendering."""

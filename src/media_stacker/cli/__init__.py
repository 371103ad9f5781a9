"""Command-line interface for media stacker."""

"""Dread Hall — a room graph that adapts to the player's state of mind."""

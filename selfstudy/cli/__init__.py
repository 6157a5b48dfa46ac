"""Terminal front end for the course player."""

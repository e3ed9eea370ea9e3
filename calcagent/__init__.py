"""Calculator assistant that remembers user-named values across turns."""

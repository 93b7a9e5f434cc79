"""Built-in commands available in every chat."""

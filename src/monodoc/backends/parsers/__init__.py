"""Language parsers for the syntax facility."""

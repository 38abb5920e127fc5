"""DevCanvas command line interface."""

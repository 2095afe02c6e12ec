"""parcov command line interface."""

"""hitch - compose, preview and send HTTP requests from the command line."""

__version__ = "0.3.0"

"""Interactive shell for the Blaze Engineer job service.

The menu surface is implemented with Typer and Rich; every action is a thin
request to the remote API and the response is printed as returned.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

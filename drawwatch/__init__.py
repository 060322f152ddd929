"""Watch the SuperEnalotto results archive and push a notification on new draws."""

__version__ = "0.1.0"

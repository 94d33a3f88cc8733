"""migrun: revision-ordered schema migrations for TinyDB stores."""

__version__ = "0.1.0"

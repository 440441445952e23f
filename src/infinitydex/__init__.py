"""infinitydex - cross-chain swap orchestration."""

__version__ = "0.1.0"

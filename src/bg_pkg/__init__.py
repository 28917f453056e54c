"""BioGalactic research discovery core."""

__version__ = "0.1.0"

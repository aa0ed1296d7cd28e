"""Package coursework files into a folder and zip archive described by ``bathpack.toml``."""

__version__ = "0.1.0"

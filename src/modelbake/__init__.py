"""modelbake: offline glTF model compiler producing GPU-ready model paks."""

__version__ = "0.1.0"

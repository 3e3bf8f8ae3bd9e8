"""mkvbatch - track matching and mux job assembly for batch MKV remuxing."""

__version__ = "0.1.0"

"""PDF Agent: retrieval-augmented chat over an uploaded PDF."""

__version__ = "1.0.0"

"""Metric, Christoffel symbols, coordinate maps, radiation reaction and orbit integration in the KRZ spacetime."""

__version__ = "0.1.0"
__all__ = ["metric", "christoffel", "coordinates", "radiation", "orbit"]
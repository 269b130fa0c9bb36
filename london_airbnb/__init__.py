"""
London Airbnb Spatial Analysis
Package for cleaning London listings, aggregating them to administrative areas,
and fitting spatial econometric models (Moran's I, SAR, SEM, GWR) to prices.
"""

__version__ = "1.0.0"

# Lazy imports to avoid long startup times (PySAL, mgwr)
# Import as needed in code

__all__ = [
    "config", "io", "cleaning", "spatial", "weights", "autocorrelation",
    "models", "gwr", "clustering", "viz", "report", "qc", "pipeline",
]

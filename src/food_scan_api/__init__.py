"""Food Scan API: food photo recognition, nutrition lookup and AI analysis."""

__version__ = "1.0.0"

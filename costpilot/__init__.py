"""Common billing, instance, region and metric queries across cloud providers."""

__version__ = "0.1.0"
"""gopick — interactive Go package search and install."""

__version__ = "0.1.0"

"""graphlens — graph analytics and layout engine for knowledge-base graph views."""

__version__ = "0.4.0"

"""cgg - charts from collectd RRD archives."""

__version__ = "0.3.0"

"""Hierarchy editing and state propagation backend for a Fedora/Solr digital library."""

__version__ = "0.1.0"

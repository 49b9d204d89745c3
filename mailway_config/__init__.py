"""
Mailway Configuration Store

Live-reloading configuration for Mailway services.
Merges conf.d YAML fragments into one typed record and keeps it current
as fragments change on disk.
"""

__version__ = "1.0.0"
__author__ = "Mailway Team"

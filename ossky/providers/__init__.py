"""Concrete adapters for the interfaces in :mod:`ossky.interfaces`."""

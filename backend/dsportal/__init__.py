"""Dataspace portal backend."""

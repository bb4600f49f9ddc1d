"""Voxel level state, drone commands, tick simulation, meshing, ray queries and a binary level format."""

__version__ = "0.1.0"
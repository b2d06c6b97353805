"""Moteur de rapports de la gestion des fonds (DGDA, Kin-Ville)."""

__version__ = "0.1.0"

"""
pluviorn - collecte des pluviométries du Rio Grande do Norte.

Deux sources indépendantes, normalisées vers un même schéma :
- INMET : API REST des stations automatiques (relevés horaires)
- EMPARN : bulletin quotidien HTML adressé par un identifiant séquentiel
"""

__version__ = "1.0.0"

"""
convergo - motor de provisioning declarativo e idempotente.

Declara recursos (Package, Group, User, Exec, Service), los ordena según sus
aristas require/notify y converge el host aplicando solo lo que difiere.
"""

__version__ = "1.0.0"

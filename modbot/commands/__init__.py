"""Command modules package.

Every module below this package is scanned at startup; each concrete
``BaseCommand`` subclass defined in it is loaded into the command registry.
"""

"""E-commerce building blocks: settings, JWT auth, users, products and orders."""

__version__ = "0.1.0"
"""
E-commerce store schema, provisioning tools and checkout services
"""

__version__ = "1.0.0"

"""
Order placement and order lifecycle services built on the store schema
"""

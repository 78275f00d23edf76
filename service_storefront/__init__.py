"""
Storefront Service for the bookstore catalog access layer.
"""

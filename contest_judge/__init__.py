"""Contest judge service"""

"""Statement builders and small helpers with no driver dependencies.
"""

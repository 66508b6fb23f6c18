"""
Silver Layer Load
"""

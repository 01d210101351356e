"""
HTTP роутеры API v1
"""

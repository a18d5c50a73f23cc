"""
Business logic shared by the routers.
"""

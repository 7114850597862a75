"""
Symbol master sync service
"""

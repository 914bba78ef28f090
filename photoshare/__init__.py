"""
Photoshare API: a photo sharing service
"""

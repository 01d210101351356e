"""
Учет допусков машинистов депо: API на FastAPI
"""
__version__ = "1.0.0"

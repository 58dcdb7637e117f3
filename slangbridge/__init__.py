"""
SlangBridge - style-to-style English translation with a freshness-aware slang layer
"""
__version__ = "0.1.0"

"""Response generator adapters.

Generation is the expensive downstream operation the limiter and cache
protect. Only a simulated generator ships today.
"""

"""
Structured observability events shared by the query pipeline and the assistant server.
"""

"""
resperf API

Backend clients, wire schemas, metric queries and HTTP routes.
"""

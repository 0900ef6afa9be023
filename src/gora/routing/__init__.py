"""Routing: path templates compiled to anchored regular expressions.

Routes are matched in registration order; the first route whose method
and expression both match serves the request.
"""

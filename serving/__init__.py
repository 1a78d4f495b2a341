"""
Serving module for the Retraining Trigger service

Exposes trigger evaluation over HTTP.
"""

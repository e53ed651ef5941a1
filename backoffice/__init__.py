"""Back-office application for the veterinary clinic.

This package holds the backend client, session handling, the JSON proxy
and the server-rendered screens (CRUD tables and the analytics
dashboard) that sit in front of the clinic REST API.
"""

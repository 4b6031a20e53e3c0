"""
Services layer - business logic goes here.

DESIGN PRINCIPLE:
- Services receive their collaborators (report store, clock, notification
  sink, state store) through their constructors; nothing reaches for a
  global client
- Routes only translate HTTP to service calls
"""

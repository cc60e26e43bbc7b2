"""
Session subsystem.

Components:
- machine.py: the single active focus/break session and its expiry latch
- clock.py: polling observer that notifies and acks expiry
"""

"""
Helpdesk Service
================

Application root package.
"""

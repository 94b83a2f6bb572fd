"""
Services package
Account persistence, auth workflows and email notifications
"""

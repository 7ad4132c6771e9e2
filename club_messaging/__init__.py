"""Conversation engine for the student-organization admin dashboard."""

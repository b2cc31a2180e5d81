"""
LinkLocker data-access and session package.

Provides Firestore-backed CRUD helpers for downloads, users, community links
and site settings, plus a session object that keeps the logged-in user in a
local key-value store.
"""

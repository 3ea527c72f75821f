"""Routing — compiled route table with O(path-depth) matching.

Used twice: once for the app's HTTP routes and once by ``PageRouter``
to map page paths to page functions.
"""

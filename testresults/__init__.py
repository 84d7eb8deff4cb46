"""
testresults: reconstruction of test-taking sessions from flat export rows

This package rebuilds the Person -> Booklet -> Unit hierarchy from the
response and log rows exported by a test-delivery platform, and provides
structural validation for the rebuilt entities.
"""

__version__ = "1.0.0"
__author__ = "testresults contributors"

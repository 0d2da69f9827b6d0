"""Test suite for the client request portal"""

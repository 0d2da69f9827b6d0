"""
Backend Scripts Module

This module contains utility scripts for database operations and maintenance.

Available scripts:
    - seed_data.py: Creates sample clients, employees and managers
    - normalize_departments.py: Rewrites department aliases to standard labels

Usage:
    python -m scripts.seed_data
    python -m scripts.normalize_departments --dry-run
"""

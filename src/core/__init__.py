"""
Core business logic for image derivatives.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
or any infrastructure concerns. This separation means we can test the
pipeline in isolation and swap storage or transform backends freely.
"""

"""Shared helpers for formatting Discord messages"""

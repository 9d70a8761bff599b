"""Shared constants and exceptions for JugaBar"""

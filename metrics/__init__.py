"""Metric definitions, configuration store and sample collection"""

"""Probe pipeline: target templating, JSON fetch and rendering"""

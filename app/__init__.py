"""HTTP application for the JSON exporter"""

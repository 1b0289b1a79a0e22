"""Business domains, one package per area of the portal"""

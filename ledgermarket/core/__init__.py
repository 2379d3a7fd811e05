"""Marketplace core: auction engine, asset registry, storage, events"""

"""Colour themes for diagram elements."""
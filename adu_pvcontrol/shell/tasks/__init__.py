"""Task modules, one per update type."""

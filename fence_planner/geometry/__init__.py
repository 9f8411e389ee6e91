"""
Planning geometry engine.

Pure Python math. No I/O.
Given drawn lines, polygons and posts, produce panel cuts, offsets,
post spans, breaker lines and deck board runs.
"""

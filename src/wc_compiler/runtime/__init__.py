"""
Runtime layer - parsing, override resolution, recurrence, time normalization,
and the compile pipeline that ties them together.
"""

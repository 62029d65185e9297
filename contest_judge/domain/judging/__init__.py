"""
Judging domain
Test cases, backends that run them, and reducers that turn results into verdicts.
"""

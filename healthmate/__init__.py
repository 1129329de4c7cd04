"""
HealthMate core: AI advice orchestration and chat sessions over a week of
health records.
"""

"""
HR reminder engine package

Scheduling and multi-channel delivery of birthday, work anniversary and
festival greetings to employees.
"""

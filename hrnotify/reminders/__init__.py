"""Reminder engine (scheduler, template cache, channel dispatch, Celery worker).

Intended to run as a Celery worker plus beat. Each event type is scanned on its
own interval; due employees are rendered a template and sent the message over
every configured channel, and each attempt is recorded in the notifications table.
"""

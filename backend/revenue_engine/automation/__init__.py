"""
Automation Module

Trigger events, campaigns and their dispatch:
- TriggerDispatcher: event queue, built-in reactions, campaign matching
- EXECUTORS: one executor per campaign action kind
- NotificationSender: simulated email / SMS delivery
- CampaignManager: campaign CRUD and YAML definitions
"""

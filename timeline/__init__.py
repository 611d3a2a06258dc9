"""Connection timeline progression engine.

Modules:
  progression : stage state machine and auto-advancement
  visibility  : visible-window selection and progression summaries
  deadlines   : response deadline sweep and its recurring scheduler
  context     : status/response messaging context classifier
"""

"""
TxDemo - interactive transaction isolation demonstrations.

Architecture:
- providers.py: Resource/Task protocols, StepResult, registries
- dispatcher.py: the state machine (messages in, state + commands out)
- task_runner.py / animation.py / lifecycle.py: command builders
- render.py: pure state -> text
- app.py: Textual host that executes commands and draws the stage
- sample/: an in-process resource used for the bundled demonstrations

Extensibility points:
1. New resources: implement the Resource protocol, register in a ResourceRegistry
2. New demonstrations: implement the Task protocol, return it from list_tasks()
3. New palettes: pass a different Theme to the app
"""

__version__ = "0.1.0"

"""
Pipeline Core

Sequential stage orchestration for one delivery run.

Components:
- PipelineRunner: Runs stages in order, short-circuits on propagating failure
- Stage / steps: Declarative stage bodies built from external commands
- Models: Failure policies, stage results, run outcome
- Exceptions: Pipeline exception hierarchy
"""

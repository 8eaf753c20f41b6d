# Business dashboard backend: client pipeline board and its data service.
#
# Packages:
#   pipeline/  - Stage-ordering engine (registry, partition, moves, reconciliation)
#   config.py  - YAML/env configuration and logging setup

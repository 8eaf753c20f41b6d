# Pipeline board: stage ordering, optimistic moves, and reconciliation
#
# Components:
#   stages.py    - Stage registry (StageId, labels, display colors)
#   schema.py    - Data model (Client, StageAssignment)
#   partition.py - Roster partitioner (clients -> ordered per-stage lists)
#   moves.py     - Move operation (optimistic relocation of one client)
#   reconcile.py - Reconciliation policy (pending/settled moves, refetch merge)
#   board.py     - Board controller (composes the above for the UI layer)
#   errors.py    - Error taxonomy
#   store.py     - SQLite client store (local stand-in for the data service)
#   remote.py    - Roster sources (REST and store-backed) and roster cache

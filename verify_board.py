#!/usr/bin/env python3
"""
Quick verification that the pipeline board works end-to-end.
"""
import asyncio

from dashboard.config import Config, setup_logging
from dashboard.pipeline.board import BoardController
from dashboard.pipeline.partition import partition_to_dict
from dashboard.pipeline.remote import RestRosterSource, StoreRosterSource
from dashboard.pipeline.stages import StageId
from dashboard.pipeline.store import ClientStore

DB_PATH = "/tmp/dashboard_test_pipeline.db"


async def run():
    print("=" * 60)
    print("Pipeline Board Verification")
    print("=" * 60)

    print("\n[1/5] Creating SQLite store...")
    store = ClientStore(DB_PATH)
    for client in store.list_clients_with_kanban():
        store.delete_client(client["id"])
    print("✅ Store created")

    print("\n[2/5] Adding clients...")
    a = store.create_client("Maria Souza", organization="Matriz")
    b = store.create_client("João Lima", organization="Filial Norte")
    print(f"✅ Clients created: {a['id']}, {b['id']}")

    print("\n[3/5] Loading board...")
    board = BoardController(StoreRosterSource(store))
    await board.refresh()
    print(f"   {partition_to_dict(board.get_partition())}")

    print("\n[4/5] Moving a client (optimistic)...")
    failures = []
    board.subscribe("move_failed", lambda failure: failures.append(failure))
    board.move_client(b["id"], StageId.QUALIFICACAO, 0)
    print(f"   local:  {partition_to_dict(board.get_partition())}")
    await board.wait_idle()
    print(f"   synced: {partition_to_dict(board.get_partition())}")
    if failures:
        print(f"❌ Move failed: {failures[0].message}")
        return

    print("\n[5/5] Moving an unknown client...")
    task = board.move_client(9999, StageId.LEAD, 0)
    print(f"✅ Dropped locally: {task is None}")

    print("\n" + "=" * 60)
    print("✅ ALL CHECKS PASSED")
    print("=" * 60)
    print(f"Test database: {DB_PATH}")


async def run_remote(cfg: Config):
    print("=" * 60)
    print(f"Pipeline Board Verification (data service at {cfg.api_url})")
    print("=" * 60)

    board = BoardController(RestRosterSource.from_config(cfg))
    await board.refresh()
    for stage, count in board.stage_counts().items():
        print(f"   {stage.value:<14} {count}")
    print("\n✅ Board loaded from data service")


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Pipeline board verification")
    parser.add_argument("--remote", action="store_true",
                        help="Load the board from the configured data service instead of a temp store")
    parser.add_argument("--config", help="Path to config.yaml")
    args = parser.parse_args()

    cfg = Config.load(args.config)
    setup_logging(cfg.log_level)
    if args.remote:
        asyncio.run(run_remote(cfg))
    else:
        asyncio.run(run())


if __name__ == "__main__":
    main()

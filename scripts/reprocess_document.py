#!/usr/bin/env python3
"""
Script to re-run the extraction pipeline for stored documents.

Uses each document's stored file URL. With REPLACE_EXISTING_RESULTS=true (the
default) previous result rows are replaced; otherwise new rows are appended.

Usage: python scripts/reprocess_document.py <document_id>
       python scripts/reprocess_document.py --all
       python scripts/reprocess_document.py --all --dry-run  # Preview only
"""
import asyncio
import os
import sys
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from labwise.config import get_settings
from labwise.database import get_session_factory, init_db
from labwise.logging_config import setup_logging
from labwise.services.factory import build_services
from labwise.services.pipeline import LabReportPipeline
from labwise.services.storage import DocumentStore, ResultStore


async def reprocess(document_id: str = None, process_all: bool = False, dry_run: bool = False) -> int:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    await init_db()

    async with get_session_factory()() as session:
        documents = DocumentStore(session)
        if process_all:
            targets = await documents.select_all()
        else:
            document = await documents.get(document_id)
            if not document:
                print(f"❌ Document {document_id} not found")
                return 1
            targets = [document]

        if not targets:
            print("ℹ No documents found")
            return 0

        print(f"Found {len(targets)} document(s) to reprocess")
        if dry_run:
            for doc in targets:
                print(f"  • {doc.id}  {doc.file_name}  {doc.file_url}")
            print("Dry run: no changes made")
            return 0

        services = build_services(settings)
        pipeline = LabReportPipeline(settings, services, documents, ResultStore(session))
        failed = 0
        for doc in targets:
            outcome = await pipeline.run(doc.file_url, doc.id)
            marker = "⚠" if outcome.degraded or outcome.insert_errors else "✓"
            print(f"  {marker} {doc.id}: extracted={outcome.extracted} insert_errors={len(outcome.insert_errors)}")
            if outcome.insert_errors:
                failed += 1
        return 1 if failed else 0


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="Re-run lab result extraction for stored documents")
    parser.add_argument("document_id", nargs="?", help="Document to reprocess")
    parser.add_argument("--all", action="store_true", help="Reprocess every document")
    parser.add_argument("--dry-run", action="store_true", help="List documents without reprocessing")
    args = parser.parse_args()

    if not args.all and not args.document_id:
        parser.error("provide a document_id or use --all")

    try:
        sys.exit(asyncio.run(reprocess(args.document_id, process_all=args.all, dry_run=args.dry_run)))
    except KeyboardInterrupt:
        print("\n❌ Cancelled")
        sys.exit(1)

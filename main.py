# main.py (FastAPI)
import logging
from typing import List

from fastapi import FastAPI, HTTPException, Response
from fastapi.concurrency import run_in_threadpool

import config
from api_schema import (DoseCheckRequest, DoseCheckResponse, MergedRecord, QuickCard, RawPayload,
                        Report, ReportSubmission, ResolveResponse)
from dose_check import check, dose_hint
from drug_matcher import build_index, load_dataset
from report_store import JsonFileKV, ReportStore, build_report
from resolver import Resolver, ScanSession

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("api")

app = FastAPI(title="MediScan Drug Resolver API")

drug_index = {}      # built at startup, read-only afterwards
resolver = None
session = None
store = None


@app.on_event("startup")
async def startup():
    global drug_index, resolver, session, store
    loaded = load_dataset(config.DRUG_DATASET_FILE)
    if loaded.ok:
        drug_index = build_index(loaded.records)
        logger.info(f"Loaded {len(loaded.records)} drug records ({len(drug_index)} index keys).")
    else:
        logger.warning(f"{loaded.error}; continuing in fallback-only mode.")
        drug_index = {}

    resolver = Resolver(drug_index)
    session = ScanSession(resolver)
    store = ReportStore(JsonFileKV(config.REPORTS_FILE), config.REPORTS_STORAGE_KEY)


@app.on_event("shutdown")
async def shutdown():
    if resolver is not None:
        resolver.shutdown()


def _payload_text(payload: RawPayload) -> str:
    text = payload.text.strip()
    if payload.origin == "manual" and not text:
        raise HTTPException(status_code=400, detail="Enter search term")
    return text


@app.get("/health")
async def health():
    return {"status": "ok", "index_keys": len(drug_index), "fallback_enabled": resolver.fallback_enabled}


@app.post("/resolve", response_model=ResolveResponse)
async def resolve(payload: RawPayload):
    text = _payload_text(payload)
    # openFDA calls block; keep them off the event loop
    record, published = await run_in_threadpool(session.submit, text)
    if not published:
        logger.debug(f"Result for '{text}' was superseded by a newer request")
    return ResolveResponse(status="success", data=record, dose_hint=dose_hint(record))


@app.post("/quick-card", response_model=QuickCard)
async def quick_card(payload: RawPayload):
    return resolver.quick_card(_payload_text(payload))


@app.get("/current", response_model=MergedRecord)
async def current():
    if session.current is None:
        raise HTTPException(status_code=404, detail="No drug resolved yet")
    return session.current


@app.post("/dose-check", response_model=DoseCheckResponse)
async def dose_check(req: DoseCheckRequest):
    return DoseCheckResponse(drug_name=req.drug_name, high_dose=check(req.drug_name, req.amount_mg, drug_index))


@app.post("/reports", response_model=Report, status_code=201)
async def submit_report(submission: ReportSubmission):
    report = build_report(submission, drug_index, current=session.current, candidate=session.candidate)
    await run_in_threadpool(store.append_report, report)
    return report


@app.get("/reports", response_model=List[Report])
async def list_reports():
    return await run_in_threadpool(store.history)


@app.get("/reports/export")
async def export_reports():
    body = await run_in_threadpool(store.export_json)
    return Response(content=body, media_type="application/json",
                    headers={"Content-Disposition": 'attachment; filename="mediscan_reports.json"'})


@app.get("/reports/{report_id}", response_model=Report)
async def get_report(report_id: str):
    report = await run_in_threadpool(store.get_report, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@app.delete("/reports", status_code=204)
async def clear_reports():
    await run_in_threadpool(store.clear_all)
    return Response(status_code=204)

# api.py
import os
from contextlib import asynccontextmanager
from typing import List, Optional, Union

print("[API] Booting FastAPI...")

from fastapi import FastAPI, APIRouter, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from dotenv import load_dotenv

_loaded = load_dotenv()
print(f"[API] .env loaded: {_loaded}")
print(f"[API] ENV presence -> ETH RPC: {'yes' if os.getenv('WEB3_PROVIDER_ETHEREUM') else 'no'}, "
      f"BASE RPC: {'yes' if os.getenv('WEB3_PROVIDER_BASE') else 'no'}, "
      f"BSC RPC: {'yes' if os.getenv('WEB3_PROVIDER_BSC') else 'no'}")

from marketwatch import config
from marketwatch.chains import CHAINS, make_web3
from marketwatch.core.detect import build_request, detect_new_pairs
from marketwatch.utils.cache import TTLCache

print("[API] Imports OK")

# One result cache per process; its sweeper lives as long as the app
CACHE = TTLCache(default_ttl=config.CACHE_TTL_SECONDS)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    CACHE.start_sweeper(config.CACHE_SWEEP_SECONDS)
    try:
        yield
    finally:
        CACHE.stop_sweeper()


app = FastAPI(title="Fresh Market Watch API", version="0.1.0", lifespan=lifespan)
print("[API] FastAPI instance created.")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _describe(err: dict) -> str:
    field = ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body"
    return f"{field}: {err.get('msg')}"


@app.exception_handler(RequestValidationError)
async def invalid_body(_request: Request, exc: RequestValidationError):
    # malformed bodies get the same failure shape as rejected inputs
    problems = "; ".join(_describe(err) for err in exc.errors())
    print(f"[API] invalid body -> {problems}")
    return JSONResponse(status_code=400, content={"success": False, "error": f"Invalid request: {problems}"})


api = APIRouter(prefix="/api")


class ListJob(BaseModel):
    chain: str
    factories: Union[str, List[str], None] = Field(
        default=None, description="Factory addresses: a list or a comma separated string"
    )
    window_minutes: Union[int, str] = Field(default=config.DEFAULT_WINDOW_MINUTES)
    rpc_url: Optional[str] = None


@api.get("/health")
def health():
    print("[API] GET /api/health")
    return {"ok": True}


@api.get("/chains")
def chains():
    print("[API] GET /api/chains")
    return {
        key: {
            "name": cfg["name"],
            "chainid": cfg["chainid"],
            "block_time": cfg["block_time"],
            "common_factories": cfg["common_factories"],
        }
        for key, cfg in CHAINS.items()
    }


@api.post("/list")
def list_new_pairs(job: ListJob):
    print(f"[API] POST /api/list -> chain={job.chain} window={job.window_minutes} custom_rpc={'yes' if job.rpc_url else 'no'}")
    try:
        req = build_request(job.chain, job.factories, job.window_minutes, job.rpc_url)
    except ValueError as ve:
        print(f"[API] /list ValueError -> {ve}")
        return JSONResponse(status_code=400, content={
            "success": False, "chain": job.chain, "window_minutes": job.window_minutes, "error": str(ve),
        })

    result = detect_new_pairs(req, cache=CACHE, web3_factory=make_web3)
    if not result.success:
        print(f"[API] /list FAIL -> {result.error}")
        return JSONResponse(status_code=400, content=result.to_dict())

    print(f"[API] /list OK chain={result.chain} pairs={len(result.pairs)}")
    return result.to_dict()


app.include_router(api)
print("[API] Router included.")

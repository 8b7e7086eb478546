from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from cortexbuild.core.config import settings
from cortexbuild.core.firebase import init_firebase
from cortexbuild.core.database import engine, Base, SessionLocal
from cortexbuild.core.rate_limit_middleware import RateLimitMiddleware
from cortexbuild.api.v1.router import api_router
from cortexbuild.services.plan_catalog import PlanCatalog
import cortexbuild.models  # noqa: F401 - registers tables on Base.metadata
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

__version__ = "1.0.0"

# Initialize Firebase
init_firebase()

# Create database tables and seed the plan catalog once
Base.metadata.create_all(bind=engine)
with SessionLocal() as db:
    PlanCatalog().seed_plans_if_empty(db)

app = FastAPI(
    title="CortexBuild API",
    version=__version__,
    debug=settings.debug,
    redirect_slashes=False,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RateLimitMiddleware)

app.include_router(api_router, prefix=settings.api_v1_str)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

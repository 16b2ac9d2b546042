from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sliceboard.config import settings
from sliceboard.routes.analysis import router as analysis_router
from sliceboard.routes.charts import router as charts_router
from sliceboard.routes.projects import router as projects_router
from sliceboard.routes.slicers import router as slicers_router

app = FastAPI(title="Sliceboard API", version="1.0.0", debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"message": "Sliceboard API is running", "version": "1.0.0"}


@app.get("/health")
def health():
    return {"status": "healthy"}


app.include_router(projects_router)
app.include_router(slicers_router)
app.include_router(charts_router)
app.include_router(analysis_router)

import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import CORS_ORIGINS, LOG_LEVEL
from app.core.errors import RulesError

# IMPORTANTE: Importar Base y Engine para que funcione la creación de tablas
from app.db.session import engine, Base

# Importar modelos para que SQLAlchemy los "vea" antes de crear las tablas
from app.db.models import _all

# Importar las rutas (los routers)
from app.api.selections import router as selections_router
from app.api.cards import router as cards_router
from app.api.switcheroo import router as switcheroo_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Fantasy F1 - Motor de reglas",
    version="1.0.0"
)

# Creamos las tablas en la base de datos
Base.metadata.create_all(bind=engine)

# Conectamos las piezas (routers)
app.include_router(selections_router)
app.include_router(cards_router)
app.include_router(switcheroo_router)


# Los servicios lanzan RulesError; aquí se traduce a respuesta HTTP
@app.exception_handler(RulesError)
def rules_error_handler(request: Request, exc: RulesError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind.value, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Configuramos el permiso para que el frontend pueda hablar con Python
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def read_root():
    return {"message": "API Fantasy F1 funcionando 🏎️"}

from fastapi import FastAPI, Query, Request, UploadFile, File, Form
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import json
import uvicorn
import uuid

app = FastAPI(
    title="Mock Catalog API",
    description="API de productos y Graph API de Facebook simuladas para el exportador de feeds",
    version="1.0.0"
)


class Variant(BaseModel):
    id: int
    sku: str
    name: Optional[str] = None
    price: Optional[float] = None
    sale_price: Optional[float] = None
    qty: int = 0
    color: Optional[str] = None
    size: Optional[str] = None
    image: Optional[str] = None


class Product(BaseModel):
    id: int
    type: str = Field("simple", description="simple | configurable")
    name: str = Field(..., min_length=1, max_length=200)
    sku: str = Field(..., description="Código único del producto")
    description: Optional[str] = None
    price: float = Field(..., gt=0, description="Precio de venta")
    sale_price: Optional[float] = None
    qty: int = 0
    url: Optional[str] = None
    image: Optional[str] = None
    images: List[str] = []
    brand: Optional[str] = None
    category: str = "General"
    google_category: Optional[str] = None
    variants: List[Variant] = []


# Base de datos en memoria (simulada)
PRODUCTS_DB = [
    {
        "id": 1,
        "type": "simple",
        "name": "Laptop Dell XPS 13",
        "sku": "DELL-XPS13-001",
        "description": "<p>Laptop ultraportátil 13\" con procesador Intel Core i7</p>",
        "price": 1299.99,
        "sale_price": 1199.99,
        "qty": 12,
        "url": "https://shop.example.com/dell-xps-13",
        "image": "https://shop.example.com/media/dell-xps-13.jpg",
        "images": ["https://shop.example.com/media/dell-xps-13-side.jpg"],
        "brand": "Dell",
        "category": "Electronics > Computers",
        "google_category": "328",
    },
    {
        "id": 2,
        "type": "simple",
        "name": "Mouse Logitech MX Master 3",
        "sku": "LOG-MX3-002",
        "description": "Mouse inalámbrico ergonómico de precisión",
        "price": 99.99,
        "qty": 0,
        "url": "https://shop.example.com/mx-master-3",
        "image": "https://shop.example.com/media/mx-master-3.jpg",
        "brand": "Logitech",
        "category": "Accessories",
    },
    {
        "id": 3,
        "type": "simple",
        "name": "Teclado Mecánico Keychron K2",
        "sku": "KEY-K2-003",
        "description": "Teclado mecánico 75% con switches Gateron",
        "price": 89.99,
        "qty": 40,
        "url": "https://shop.example.com/keychron-k2",
        "image": "https://shop.example.com/media/keychron-k2.jpg",
        "brand": "Keychron",
        "category": "Accessories",
    },
    {
        "id": 10,
        "type": "configurable",
        "name": "Camiseta Básica",
        "sku": "TSHIRT-BASIC",
        "description": "Camiseta de algodón orgánico",
        "price": 19.99,
        "url": "https://shop.example.com/camiseta-basica",
        "image": "https://shop.example.com/media/camiseta.jpg",
        "category": "Apparel",
        "google_category": "212",
        "variants": [
            {"id": 11, "sku": "TSHIRT-BASIC-S-BLK", "qty": 5, "color": "Black", "size": "S"},
            {"id": 12, "sku": "TSHIRT-BASIC-M-BLK", "qty": 0, "color": "Black", "size": "M"},
            {"id": 13, "sku": "TSHIRT-BASIC-L-WHT", "qty": 8, "color": "White", "size": "L",
             "price": 21.99},
        ],
    },
]

# Feeds de catálogo simulados: {feed_id: {"id", "name", "catalog_id", "pending_polls"}}
FEEDS_DB = {}
UPLOADS_DB = []
BATCH_REQUESTS_DB = []

# Consultas que fallan tras crear un feed (procesamiento asíncrono de Facebook)
FEED_READY_AFTER_POLLS = 1


def graph_error(message: str, code: int = 100, status_code: int = 400):
    """Respuesta de error con el formato de la Graph API"""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "message": message,
                "type": "OAuthException" if code == 190 else "GraphMethodException",
                "code": code,
                "fbtrace_id": uuid.uuid4().hex[:11],
            }
        }
    )


def check_token(request: Request):
    if not request.query_params.get("access_token"):
        return graph_error("An active access token must be used to query information.", code=190)
    return None


@app.get("/")
async def root():
    """Endpoint raíz con información de la API"""
    return {
        "message": "Mock Catalog API - Facebook feed exporter",
        "version": "1.0.0",
        "endpoints": {
            "products": "/products",
            "health": "/health",
            "product_feeds": "/{version}/{catalog_id}/product_feeds",
            "feed": "/{version}/{feed_id}",
            "uploads": "/{version}/{feed_id}/uploads",
            "batch": "/{version}/{catalog_id}/batch",
            "docs": "/docs"
        }
    }


@app.get("/health")
async def health_check():
    """Health check para verificar que la API está funcionando"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "products_count": len(PRODUCTS_DB)
    }


@app.get("/products")
async def list_products(
    skip: int = Query(0, ge=0, description="Número de registros a saltar"),
    limit: int = Query(100, ge=1, le=5000, description="Límite de registros"),
    type: Optional[str] = Query(None, description="Filtrar por tipo (simple / configurable)"),
    store: Optional[str] = Query(None, description="Tienda (no altera los datos simulados)")
):
    """
    Obtiene lista de productos con paginación por tipo

    Una página vacía indica que no quedan productos.
    """
    products = PRODUCTS_DB.copy()

    if type:
        products = [p for p in products if p.get("type") == type]

    total = len(products)
    products = [Product(**p).model_dump() for p in products[skip:skip + limit]]

    return JSONResponse(
        content={
            "items": products,
            "total": total,
            "skip": skip,
            "limit": limit
        }
    )


# ========== Graph API ==========
@app.get("/{version}/{catalog_id}/product_feeds")
async def list_product_feeds(version: str, catalog_id: str, request: Request):
    """Lista los feeds de un catálogo"""
    error = check_token(request)
    if error:
        return error

    feeds = [
        {"id": feed["id"], "name": feed["name"]}
        for feed in FEEDS_DB.values() if feed["catalog_id"] == catalog_id
    ]
    return {"data": feeds, "paging": {"cursors": {"before": None, "after": None}}}


@app.post("/{version}/{catalog_id}/product_feeds")
async def create_product_feed(version: str, catalog_id: str, request: Request, name: str = Form(...)):
    """Crea un feed vacío en el catálogo"""
    error = check_token(request)
    if error:
        return error

    feed_id = str(uuid.uuid4().int)[:15]
    FEEDS_DB[feed_id] = {
        "id": feed_id,
        "name": name,
        "catalog_id": catalog_id,
        "pending_polls": FEED_READY_AFTER_POLLS,
    }
    return {"id": feed_id}


@app.post("/{version}/{feed_id}/uploads")
async def upload_feed(version: str, feed_id: str, request: Request, file: UploadFile = File(...)):
    """Recibe el CSV del feed"""
    error = check_token(request)
    if error:
        return error

    if feed_id not in FEEDS_DB:
        return graph_error(f"Unsupported post request. Object with ID '{feed_id}' does not exist")

    content = await file.read()
    upload_id = str(uuid.uuid4().int)[:15]
    UPLOADS_DB.append({
        "id": upload_id,
        "feed_id": feed_id,
        "filename": file.filename,
        "rows": max(content.decode("utf-8").count("\n") - 1, 0),
    })
    return {"id": upload_id}


@app.post("/{version}/{catalog_id}/batch")
async def catalog_batch(version: str, catalog_id: str, request: Request, requests: str = Form(...)):
    """Peticiones batch al catálogo (ej: DELETE por retailer_id)"""
    error = check_token(request)
    if error:
        return error

    try:
        operations = json.loads(requests)
    except ValueError:
        return graph_error("Invalid parameter: requests must be a JSON array")

    BATCH_REQUESTS_DB.append({"catalog_id": catalog_id, "requests": operations})
    return {"handles": [uuid.uuid4().hex]}


@app.get("/{version}/{feed_id}")
async def get_feed(version: str, feed_id: str, request: Request):
    """
    Consulta un feed

    Simula el retraso de Facebook: las primeras consultas tras crear
    el feed fallan como si todavía no existiera.
    """
    error = check_token(request)
    if error:
        return error

    feed = FEEDS_DB.get(feed_id)
    if feed is None:
        return graph_error(f"Unsupported get request. Object with ID '{feed_id}' does not exist")

    if feed["pending_polls"] > 0:
        feed["pending_polls"] -= 1
        return graph_error(f"Unsupported get request. Object with ID '{feed_id}' does not exist")

    return {"id": feed["id"], "name": feed["name"]}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )

"""FastAPI application: serves the fitting API and the optimizer WebSocket."""

import logging

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from backend.api.rest_routes import router as api_router
from backend.api.ws_handler import handle_websocket
from backend.config import SERVER_HOST, SERVER_PORT

app = FastAPI(title="Fuel Formula Fitter")

# CORS for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST API routes
app.include_router(api_router)


# WebSocket endpoint
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await handle_websocket(websocket)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)

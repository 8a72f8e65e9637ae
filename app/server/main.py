from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.server.routers.cron_routes import cron_router
from app.server.routers.me_routes import me_router
from app.server.routers.video_routes import video_router

app = FastAPI()

# Define the allowed origins
origins = [
    "http://localhost:3000",
    "http://localhost:8080",
    # Add other origins as needed
    "https://karavideo.com",
    "https://www.karavideo.com",
]

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # Allows requests from these origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods (GET, POST, etc.)
    allow_headers=["*"],  # Allows all headers
)


@app.get("/", tags=["root"])
def root():
    return {"message": "success"}


# Include the routers in the main app with a prefix
app.include_router(cron_router, prefix="/cron")
app.include_router(video_router, prefix="/video")
app.include_router(me_router, prefix="/me")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)

import logging
import os

from fastapi import FastAPI

from fleetwipe.settings import load_settings
from fleetwipe.web_api import registerEndpoints

logger = logging.getLogger(__name__)

settings = load_settings(os.environ.get("FLEETWIPE_SETTINGS","fleetwipe.yaml"))

app = FastAPI(
    title="Fleet Wipe"
)
registerEndpoints(app,settings)

@app.on_event("startup")
def startup():
    logger.info("Starting the server with {}".format(settings))

@app.on_event("shutdown")
def shutdown():
    logger.info("Stopping the server...")

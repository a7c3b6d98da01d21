import logging

from fastapi import Depends, FastAPI

from app.auth import Principal, get_current_principal
from app.config import settings
from app.routers import jobs, work_logs
from app.security.sessions import install_actor_middleware

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Production Job Tracker')

install_actor_middleware(app)

app.include_router(jobs.router)
app.include_router(work_logs.router)


@app.get('/')
def root():
    return {'service': 'production-job-tracker', 'docs': '/docs'}


@app.get('/me')
def whoami(principal: Principal = Depends(get_current_principal)):
    return {'id': principal.id, 'name': principal.name, 'role': principal.role.value}

# quizbot/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, config
from .errors import InvalidAnswerError, QuizBotError
from .models import HumanAnswerRequest, ScheduleRequest, StartRequest, TokenRequest
from .session import SessionController

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)


def create_app(controller: Optional[SessionController] = None) -> FastAPI:
    """
    Build the control API around a session controller. The controller is
    created lazily at startup when none is given.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, 'controller', None) is None:
            app.state.controller = SessionController()
        logger.info("Song Quiz Bot API ready")
        yield
        await app.state.controller.shutdown()

    app = FastAPI(title='Song Quiz Bot', version=__version__, lifespan=lifespan)
    app.state.controller = controller
    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_methods=['*'],
        allow_headers=['*']
    )

    @app.exception_handler(QuizBotError)
    async def quizbot_error(request: Request, exc: QuizBotError):
        body = {'success': False, 'error': str(exc)}
        if isinstance(exc, InvalidAnswerError):
            body['valid_options'] = exc.valid_options
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError):
        fields = ', '.join('.'.join(str(p) for p in err['loc'][1:]) for err in exc.errors())
        return JSONResponse(
            status_code=400,
            content={'success': False, 'error': f'Invalid request: {fields or "body"}'},
        )

    def bot(request: Request) -> SessionController:
        return request.app.state.controller

    @app.get('/')
    async def root(request: Request):
        """Root endpoint - API information"""
        return {
            'service': 'Song Quiz Bot',
            'version': __version__,
            'status': bot(request).session.phase.value,
            'endpoints': {
                'status': 'GET /status',
                'stats': 'GET /stats',
                'start': 'POST /start {token, rounds}',
                'schedule': 'POST /schedule {token, rounds, time}',
                'stop': 'POST /stop',
                'token': 'POST /token {token}',
                'human_answer': 'POST /human-answer {answer, save_if_correct}',
                'pending_question': 'GET /pending-question',
                'health': 'GET /health',
            }
        }

    @app.get('/health')
    async def health_check():
        """Health check endpoint."""
        return {'status': 'healthy'}

    @app.get('/status')
    async def status(request: Request):
        return {'success': True, **bot(request).status()}

    @app.get('/stats')
    async def stats(request: Request):
        return {'success': True, **bot(request).stats()}

    @app.get('/pending-question')
    async def pending_question(request: Request):
        return {'success': True, 'question': bot(request).pending_question()}

    @app.post('/start')
    async def start(req: StartRequest, request: Request):
        """
        Start playing immediately. Returns as soon as the run is queued;
        progress is visible through /status and /stats.
        """
        run = bot(request).start(req.token, req.rounds)
        return {'success': True, 'message': f'Bot started for {run.rounds} rounds'}

    @app.post('/schedule')
    async def schedule(req: ScheduleRequest, request: Request):
        scheduled = bot(request).schedule(req.token, req.rounds, req.time)
        return {
            'success': True,
            'message': f'Bot scheduled for {scheduled.target.isoformat(sep=" ", timespec="minutes")}',
            'scheduled_time': int(scheduled.target.timestamp() * 1000),
            'rounds': scheduled.rounds,
        }

    @app.post('/stop')
    async def stop(request: Request):
        final = bot(request).stop()
        return {'success': True, 'message': 'Bot stopped', 'final_stats': final.model_dump()}

    @app.post('/token')
    async def submit_token(req: TokenRequest, request: Request):
        bot(request).submit_credential(req.token)
        return {'success': True, 'message': 'Token updated'}

    @app.post('/human-answer')
    async def human_answer(req: HumanAnswerRequest, request: Request):
        accepted = bot(request).submit_human_answer(req.answer, req.save_if_correct)
        return {
            'success': True,
            'message': f"Answer '{accepted.answer}' accepted",
            'save_if_correct': accepted.persist_if_correct,
        }

    return app


app = create_app()

if __name__ == '__main__':
    import uvicorn
    uvicorn.run('quizbot.main:app', host='0.0.0.0', port=config.PORT)

from fastapi import FastAPI, APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from typing import Optional
import logging
import os
import secrets

from blocklist import Blocklist
from config import load_config
from database import create_db_and_tables, get_session, make_engine, migrate_submission_columns
from errors import AppError, AuthorizationError, ForbiddenError, NotFoundError, StorageError, ValidationError
from sessions import SessionStore
from submissions import clear_submissions, count_submissions, create_submission, list_submissions
from uploads import UploadStore

router = APIRouter()


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class EmailRequest(BaseModel):
    email: str = ""


# Dependencies
def current_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(request.app.state.config["session_cookie"])


def require_admin(request: Request) -> bool:
    if not request.app.state.sessions.is_authenticated(current_session_id(request)):
        raise AuthorizationError("Unauthorized")
    return True


def _missing_file(upload: Optional[UploadFile]) -> bool:
    return upload is None or not upload.filename


def _end_session(request: Request, response):
    request.app.state.sessions.destroy(current_session_id(request))
    response.delete_cookie(request.app.state.config["session_cookie"])
    return response


# Error handlers
async def app_error(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logging.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid input"})


async def general_error(request: Request, exc: Exception):
    logging.error(f"500 error: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def limit_upload_size(request: Request, call_next):
    # two documents plus the text fields; checked before the body is spooled
    if request.method == "POST" and request.url.path == "/submit":
        limit = 2 * request.app.state.uploads.max_bytes + 1024 * 1024
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > limit:
            logging.warning(f"Rejected /submit body of {length} bytes")
            return JSONResponse(status_code=400, content={"error": "File upload error."})
    return await call_next(request)


# Pages
@router.get("/")
async def home(request: Request):
    return {"ok": True, "service": request.app.state.config["service_name"]}


@router.get("/admin")
async def admin_page():
    return {"message": "Admin login required", "login": "/api/admin/login"}


@router.get("/admin/dashboard")
def admin_dashboard(request: Request, _: bool = Depends(require_admin), session: Session = Depends(get_session)):
    try:
        total = count_submissions(session)
    except SQLAlchemyError as e:
        logging.error(f"Dashboard query failed: {e}")
        raise StorageError("Error loading dashboard") from e
    return {"submissions": total, "blocked_users": request.app.state.blocklist.emails()}


# Admin authentication
@router.post("/api/admin/login")
async def admin_login(payload: LoginRequest, request: Request):
    config = request.app.state.config
    valid_user = secrets.compare_digest(payload.username.encode(), str(config["admin_username"]).encode())
    valid_pass = secrets.compare_digest(payload.password.encode(), str(config["admin_password"]).encode())
    if not (valid_user and valid_pass):
        logging.warning("Admin login failed")
        raise AuthorizationError("Invalid credentials")

    sessions = request.app.state.sessions
    sessions.destroy(current_session_id(request))
    session_id = sessions.create(authenticated=True)
    logging.info("Admin logged in")
    response = JSONResponse({"message": "Login successful"})
    response.set_cookie(config["session_cookie"], session_id, httponly=True, samesite="lax")
    return response


@router.get("/admin/logout")
async def admin_logout(request: Request):
    return _end_session(request, RedirectResponse("/admin", status_code=303))


@router.post("/logout")
async def logout(request: Request):
    return _end_session(request, JSONResponse({"message": "Logged out successfully"}))


# Submissions
@router.post("/submit")
async def submit(
    request: Request,
    full_name: str = Form("", alias="fullName"),
    phone: str = Form(""),
    email: str = Form(""),
    description: str = Form(""),
    birth_certificate: Optional[UploadFile] = File(None, alias="birthCertificate"),
    result_slip: Optional[UploadFile] = File(None, alias="resultSlip"),
    session: Session = Depends(get_session),
):
    fields = {
        "full_name": full_name.strip(),
        "phone": phone.strip(),
        "email": email.strip(),
        "description": description.strip(),
    }
    if request.app.state.blocklist.is_blocked(fields["email"]):
        logging.warning(f"Rejected submission from blocked {fields['email']}")
        raise ForbiddenError("Access Denied. You are blocked.")
    if not all(fields.values()):
        raise ValidationError("All fields are required.")
    if _missing_file(birth_certificate) or _missing_file(result_slip):
        raise ValidationError("Missing required files.")

    uploads = request.app.state.uploads
    uploads.check(birth_certificate)
    uploads.check(result_slip)
    fields["birth_certificate"] = await uploads.save(birth_certificate)
    fields["result_slip"] = await uploads.save(result_slip)

    try:
        submission = create_submission(session, **fields)
    except SQLAlchemyError as e:
        logging.error(f"Database insert error: {e}")
        raise StorageError("Internal Server Error") from e
    logging.info(f"Submission {submission.id} accepted from {submission.email}")
    return RedirectResponse(request.app.state.config["success_redirect"], status_code=303)


@router.post("/submit-kuccps")
def submit_kuccps(
    request: Request,
    full_name: str = Form("", alias="fullName"),
    phone: str = Form(""),
    email: str = Form(""),
    description: str = Form(""),
    index_number: str = Form("", alias="indexNumber"),
    kcse_year: str = Form("", alias="kcseYear"),
    birth_cert_number: str = Form("", alias="birthCertNumber"),
    primary_index_number: str = Form("", alias="primaryIndexNumber"),
    session: Session = Depends(get_session),
):
    fields = {
        "full_name": full_name.strip(),
        "phone": phone.strip(),
        "email": email.strip(),
        "description": description.strip(),
        "index_number": index_number.strip(),
        "kcse_year": kcse_year.strip(),
        "birth_cert_number": birth_cert_number.strip(),
        "primary_index_number": primary_index_number.strip(),
    }
    if request.app.state.blocklist.is_blocked(fields["email"]):
        logging.warning(f"Rejected KUCCPS submission from blocked {fields['email']}")
        raise ForbiddenError("Access denied. You are blocked.")
    if not all(fields.values()):
        raise ValidationError("All fields are required.")
    try:
        fields["kcse_year"] = int(fields["kcse_year"])
    except ValueError:
        raise ValidationError("kcseYear must be a year.") from None

    try:
        submission = create_submission(session, **fields)
    except SQLAlchemyError as e:
        logging.error(f"Database insert error: {e}")
        raise StorageError("Database error during submission.") from e
    logging.info(f"KUCCPS submission {submission.id} accepted from {submission.email}")
    return {"message": "Form submitted successfully!"}


# Submission administration
@router.get("/api/admin/submissions")
def admin_submissions(_: bool = Depends(require_admin), session: Session = Depends(get_session)):
    try:
        rows = list_submissions(session)
    except SQLAlchemyError as e:
        logging.error(f"Error fetching submissions: {e}")
        raise StorageError("Error fetching submissions") from e
    return [row.to_dict() for row in rows]


@router.delete("/api/admin/clear-submissions")
def admin_clear_submissions(_: bool = Depends(require_admin), session: Session = Depends(get_session)):
    try:
        deleted = clear_submissions(session)
    except SQLAlchemyError as e:
        logging.error(f"Error clearing submissions: {e}")
        raise StorageError("Error clearing submissions") from e
    logging.info(f"Cleared {deleted} submissions")
    return {"message": "Submissions cleared", "deleted": deleted}


# Blocklist
@router.post("/api/admin/block-user")
def block_user(request: Request, payload: Optional[EmailRequest] = None, _: bool = Depends(require_admin)):
    request.app.state.blocklist.block(payload.email if payload else "")
    return {"message": "User blocked"}


@router.post("/api/admin/unblock-user")
def unblock_user(request: Request, payload: Optional[EmailRequest] = None, _: bool = Depends(require_admin)):
    request.app.state.blocklist.unblock(payload.email if payload else "")
    return {"message": "User unblocked"}


# Downloads
@router.get("/api/download/{filename}")
def download(filename: str, request: Request):
    if request.app.state.config.get("download_requires_admin"):
        require_admin(request)
    path = request.app.state.uploads.resolve(filename)
    if path is None:
        raise NotFoundError("File not found.")
    if not os.access(path, os.R_OK):
        logging.error(f"Upload {path} is not readable")
        raise StorageError("Error downloading file.")
    return FileResponse(path, filename=path.name)


def create_app(config: dict = None) -> FastAPI:
    config = config or load_config()
    app = FastAPI(title=config["service_name"])

    app.state.config = config
    app.state.engine = make_engine(config["database_url"])
    app.state.blocklist = Blocklist(app.state.engine)
    app.state.sessions = SessionStore(max_age_seconds=config["session_max_age_seconds"])
    app.state.uploads = UploadStore(
        config["upload_dir"],
        max_bytes=int(config["max_upload_mb"]) * 1024 * 1024,
        allowed_extensions=config.get("allowed_extensions") or (),
    )

    app.add_exception_handler(AppError, app_error)
    app.add_exception_handler(RequestValidationError, validation_error)
    app.add_exception_handler(Exception, general_error)
    app.middleware("http")(limit_upload_size)
    app.include_router(router)

    @app.on_event("startup")
    def on_startup():
        try:
            app.state.uploads.ensure_dir()
            create_db_and_tables(app.state.engine)
            migrate_submission_columns(app.state.engine)
            blocked = app.state.blocklist.load()
        except Exception as e:
            logging.error(f"Startup failed: {e}")
            raise
        logging.info(f"Loaded {blocked} blocked users")

    return app


config = load_config()
logging.basicConfig(level=getattr(logging, str(config["log_level"]).upper(), logging.INFO))
app = create_app(config)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config["host"], port=int(config["port"]))

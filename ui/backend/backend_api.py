"""
FastAPI backend server for the classification workbench.

This server provides REST API endpoints to upload training and test tables,
train the classifiers, run batch tests, classify single texts, export results
and read the event log.
"""

import sys
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional
from datetime import datetime

# Configure logging for the backend
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# Set specific loggers to appropriate levels
logging.getLogger("classification_workbench").setLevel(logging.INFO)
logging.getLogger("botocore").setLevel(logging.WARNING)  # Reduce boto3 noise
logging.getLogger("urllib3").setLevel(logging.WARNING)  # Reduce HTTP noise

logger = logging.getLogger(__name__)

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

# Import configuration
from config import config

# Add the root directory to Python path to import the workbench library
root_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(root_dir))

from classification_workbench import (
    BusyError,
    ClassifierInterface,
    ExportError,
    InferenceError,
    PreconditionError,
    SchemaError,
    TrainingError,
    WorkbenchError,
    WorkflowController,
    default_classifiers
)
from classification_workbench.config import config as workbench_config


# Pydantic models for API requests/responses
class ClassificationRequestModel(BaseModel):
    """API model for single-text classification request."""
    text: str = Field(..., description="Narrative to classify")


class DatasetSummaryModel(BaseModel):
    """API model for an uploaded dataset."""
    role: str = Field(..., description="Dataset role (training or test)")
    source_name: Optional[str] = Field(default=None, description="Uploaded file name")
    records: int = Field(..., description="Number of records")
    columns: List[str] = Field(default_factory=list, description="Header columns")
    labels: List[str] = Field(default_factory=list, description="Distinct ground-truth labels")


class ErrorResponse(BaseModel):
    """API model for error responses."""
    error: str = Field(..., description="Error message")
    details: Optional[str] = Field(default=None, description="Error details")
    type: str = Field(default="error", description="Error type")


def build_classifiers() -> List[ClassifierInterface]:
    """Instantiate the classifier variants enabled in the system config."""
    classifiers: List[ClassifierInterface] = []
    if config.classifiers.enable_sklearn_classifiers:
        classifiers.extend(default_classifiers(workbench_config.models))
    if config.classifiers.enable_llm_classifier:
        from classification_workbench.llm_classifier import BedrockLLMClassifier
        classifiers.append(BedrockLLMClassifier(workbench_config.llm, workbench_config.aws))
    return classifiers


def handle_api_error(e: Exception) -> JSONResponse:
    """Handle API errors and return appropriate JSON response."""
    if isinstance(e, SchemaError):
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=str(e), type="schema_error").model_dump()
        )
    elif isinstance(e, PreconditionError):
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(error=str(e), type="precondition_error").model_dump()
        )
    elif isinstance(e, BusyError):
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(error=str(e), type="busy").model_dump()
        )
    elif isinstance(e, ExportError):
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(error=str(e), type="export_error").model_dump()
        )
    elif isinstance(e, (TrainingError, InferenceError)):
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=str(e), type="classifier_error").model_dump()
        )
    elif isinstance(e, WorkbenchError):
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=str(e), type="workbench_error").model_dump()
        )
    else:
        # Generic error
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error",
                details=str(e),
                type="internal_error"
            ).model_dump()
        )


def dataset_summary(dataset) -> Dict[str, Any]:
    return DatasetSummaryModel(
        role=dataset.role.value,
        source_name=dataset.source_name,
        records=len(dataset),
        columns=list(dataset.columns),
        labels=dataset.labels()
    ).model_dump()


def create_app(controller: Optional[WorkflowController] = None) -> FastAPI:
    """
    Build the API around one workflow controller.

    Args:
        controller: Controller owning the session (one with the configured classifiers if not provided)
    """
    workbench = controller or WorkflowController(build_classifiers(), workbench_config)
    max_upload_bytes = config.api.max_file_size_mb * 1024 * 1024

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        workbench.close()

    app = FastAPI(
        title="Classification Workbench API",
        description="Backend API for training, testing and running narrative classifiers",
        version="1.0.0",
        lifespan=lifespan
    )

    # Add CORS middleware for frontend communication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.workbench = workbench

    async def read_upload(file: UploadFile) -> bytes:
        content = await file.read()
        if len(content) > max_upload_bytes:
            message = f"File exceeds {config.api.max_file_size_mb} MB limit"
            workbench.event_log.error(f"Error loading {file.filename}: {message}")
            raise HTTPException(status_code=413, detail=message)
        return content

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "Classification Workbench API",
            "version": "1.0.0",
            "variants": workbench.variants,
            "endpoints": {
                "datasets": "/datasets/{training|test}",
                "train": "/train",
                "test": "/test",
                "classify": "/classify/text",
                "results": "/results",
                "export": "/export",
                "logs": "/logs",
                "state": "/state",
                "health": "/health",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "state": workbench.state.value,
            "variants": workbench.variants
        }

    @app.get("/state")
    async def get_state():
        """Current workflow state and dataset sizes."""
        return workbench.snapshot().to_dict()

    # Dataset upload endpoints

    @app.post("/datasets/training")
    async def upload_training_data(file: UploadFile = File(...)):
        """Upload the training table."""
        try:
            content = await read_upload(file)
            dataset = workbench.upload_training_data(content, source_name=file.filename)
            logger.info(f"Training data uploaded from {file.filename}: {len(dataset)} records")
            return dataset_summary(dataset)
        except HTTPException:
            raise
        except Exception as e:
            return handle_api_error(e)

    @app.post("/datasets/test")
    async def upload_test_data(file: UploadFile = File(...)):
        """Upload the test table."""
        try:
            content = await read_upload(file)
            dataset = workbench.upload_test_data(content, source_name=file.filename)
            logger.info(f"Test data uploaded from {file.filename}: {len(dataset)} records")
            return dataset_summary(dataset)
        except HTTPException:
            raise
        except Exception as e:
            return handle_api_error(e)

    # Workflow actions

    @app.post("/train")
    async def train_models():
        """Train every registered classifier on the training data."""
        try:
            handles = await workbench.train()
            return {
                "state": workbench.state.value,
                "trained_variants": list(handles),
            }
        except Exception as e:
            return handle_api_error(e)

    @app.post("/test")
    async def run_batch_test():
        """Run the batch test and return accuracy per variant."""
        try:
            evaluation = await workbench.run_batch_test()
            return {
                "state": workbench.state.value,
                **evaluation.summary.to_dict()
            }
        except Exception as e:
            return handle_api_error(e)

    @app.post("/classify/text")
    async def classify_text(request: ClassificationRequestModel):
        """Classify one narrative with every trained variant."""
        try:
            outcome = await workbench.classify_text(request.text)
            return outcome.to_dict()
        except Exception as e:
            return handle_api_error(e)

    @app.get("/results")
    async def get_results(limit: Optional[int] = None):
        """Results of the last batch test."""
        evaluation = workbench.evaluation
        if evaluation is None:
            return {"results": [], "accuracy": {}, "total_records": 0, "has_data": False}

        results = evaluation.results[:limit] if limit else evaluation.results
        return {
            "results": [result.to_dict() for result in results],
            "completed_at": evaluation.completed_at.isoformat(),
            **evaluation.summary.to_dict()
        }

    @app.get("/export")
    async def export_results():
        """Download the last batch test results as CSV."""
        try:
            data = workbench.export_results()
            return Response(
                content=data,
                media_type="text/csv",
                headers={
                    "Content-Disposition": f'attachment; filename="{workbench_config.export.filename}"'
                }
            )
        except Exception as e:
            return handle_api_error(e)

    @app.get("/logs")
    async def get_logs():
        """Full event log in arrival order."""
        return {"logs": [entry.to_dict() for entry in workbench.event_log.entries()]}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    print("Starting Classification Workbench API server...")
    print(f"Registered variants: {', '.join(app.state.workbench.variants)}")

    uvicorn.run(
        "backend_api:app",
        host=config.api.host,
        port=config.api.port,
        reload=True,
        log_level="info"
    )

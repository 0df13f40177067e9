import logging

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from dms import db
from dms.errors import APIError
from dms.models import Document
from dms.schemas import CreateDocumentRequest, parse_request

from . import document_bp

logger = logging.getLogger('dms.documents')


@document_bp.route('', methods=['GET'])
def list_documents():
    documents = Document.query.order_by(Document.created_at.desc(), Document.id.desc()).all()
    return jsonify({"success": True, "documents": [doc.to_dict() for doc in documents]}), 200


@document_bp.route('', methods=['POST'])
def upload_document():
    data = parse_request(CreateDocumentRequest, request.get_json(silent=True),
                         message="Title and content are required")

    document = Document(title=data.title, content=data.content)
    db.session.add(document)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Upload document error")
        raise APIError("Failed to upload document", 500)

    return jsonify({
        "success": True,
        "message": "Document uploaded successfully",
        "document": document.to_dict(),
    }), 201


@document_bp.route('/<int:document_id>', methods=['GET'])
def get_document(document_id):
    document = db.session.get(Document, document_id)
    if not document:
        return jsonify({"success": False, "message": "Document not found"}), 404
    return jsonify({"success": True, "document": document.to_dict()}), 200

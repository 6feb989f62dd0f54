"""
NoteKeeper Backend: Services Layer
===================================

Business logic between the HTTP routes and persistence.

Service Inventory:
    - NoteService:            note lifecycle; the only caller of both stores
    - NoteStore:              owner-scoped note persistence
    - ObjectStorageGateway:   image hosting contract
        - LocalStorageGateway       files on disk (aiofiles)
        - CloudinaryStorageGateway  Cloudinary SDK
    - AuthService:            registration, login, token authentication
    - CredentialStore:        users, bcrypt hashes, JWT signing
    - FileService:            upload validation (type, size, count)
    - ExportService:          JSON / text export
    - templates:              starter template catalogue
"""

from app.api import AdminController, EmailsController, FeedbackController, health_check

ROUTES = [
    EmailsController,
    FeedbackController,
    AdminController,
    health_check,
]

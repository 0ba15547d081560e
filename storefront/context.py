from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from storefront.config import Settings
from storefront.database import build_engine, build_session_factory
from storefront.gateway import StripeGateway
from storefront.notifications import BrevoEmailSender, NotificationDispatcher


@dataclass
class AppContext:
    """Everything a request needs that outlives the request."""

    settings: Settings
    session_factory: object
    gateway: object
    dispatcher: NotificationDispatcher
    engine: object = None
    executors: list = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        engine = build_engine(settings.database_url)
        mail_pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="mail")
        sender = BrevoEmailSender(
            api_key=settings.brevo_api_key,
            sender_email=settings.mail_sender_email,
            sender_name=settings.mail_sender_name,
        )
        return cls(
            settings=settings,
            session_factory=build_session_factory(engine),
            gateway=StripeGateway(
                api_key=settings.stripe_secret_key,
                timeout=settings.gateway_timeout_seconds,
            ),
            dispatcher=NotificationDispatcher(sender, mail_pool),
            engine=engine,
            executors=[mail_pool],
        )

    def close(self):
        for executor in self.executors:
            executor.shutdown(wait=False)
        if self.engine is not None:
            self.engine.dispose()

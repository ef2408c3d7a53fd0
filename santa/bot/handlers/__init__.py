from aiogram import Router

from santa.bot.handlers import admin, check, draw, start

router = Router()
router.include_router(start.router)
router.include_router(draw.router)
router.include_router(check.router)
router.include_router(admin.router)

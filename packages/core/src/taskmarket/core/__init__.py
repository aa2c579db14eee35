"""TaskMarket Core -- 任务生命周期领域模型、状态机与 SQLite 持久化"""

"""TaskMarket Gateway -- 任务生命周期 HTTP 接口"""

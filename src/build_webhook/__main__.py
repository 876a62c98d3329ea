from build_webhook.main import main

main()

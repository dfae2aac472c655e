from sms2mail.cli import main

main()
